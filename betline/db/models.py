"""SQL schema definitions for Betline."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS events (
    id TEXT PRIMARY KEY,
    sport TEXT NOT NULL,
    league TEXT NOT NULL,
    home_team TEXT NOT NULL,
    away_team TEXT NOT NULL,
    commence_time TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'scheduled'
        CHECK (status IN ('scheduled', 'live', 'completed')),
    home_odds REAL NOT NULL,
    away_odds REAL NOT NULL,
    draw_odds REAL,
    spreads_home_odds REAL,
    spreads_away_odds REAL,
    spreads_home_point REAL,
    spreads_away_point REAL,
    totals_over_odds REAL,
    totals_under_odds REAL,
    totals_point REAL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS profiles (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    username TEXT NOT NULL UNIQUE,
    role TEXT NOT NULL DEFAULT 'user',
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'blocked')),
    balance REAL NOT NULL DEFAULT 0 CHECK (balance >= 0),
    promo_code TEXT,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS express_groups (
    id TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL REFERENCES profiles(id),
    stake REAL NOT NULL,
    combined_odds REAL NOT NULL,
    potential_payout REAL NOT NULL,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'won', 'lost', 'void')),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS bets (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES profiles(id),
    event_id TEXT NOT NULL,
    market TEXT NOT NULL,
    outcome TEXT NOT NULL,
    odds REAL NOT NULL,
    stake REAL,
    potential_payout REAL,
    bet_type TEXT NOT NULL CHECK (bet_type IN ('single', 'express')),
    express_id TEXT REFERENCES express_groups(id),
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'won', 'lost', 'void')),
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS wager_submissions (
    submission_id TEXT PRIMARY KEY,
    user_id INTEGER NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS balance_transactions (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES profiles(id),
    amount REAL NOT NULL,
    reason TEXT NOT NULL,
    balance_after REAL NOT NULL,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS promo_codes (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT NOT NULL UNIQUE,
    user_role TEXT NOT NULL DEFAULT 'user',
    bonus_balance REAL NOT NULL DEFAULT 0,
    max_uses INTEGER,
    used_count INTEGER NOT NULL DEFAULT 0,
    expires_at TEXT,
    is_active INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS support_threads (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL REFERENCES profiles(id),
    title TEXT NOT NULL,
    status TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'closed')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS support_messages (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    thread_id INTEGER NOT NULL REFERENCES support_threads(id),
    user_id INTEGER NOT NULL REFERENCES profiles(id),
    message TEXT NOT NULL,
    sender_role TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_events_status_commence
    ON events(status, commence_time);

CREATE INDEX IF NOT EXISTS idx_bets_user
    ON bets(user_id, status);

CREATE INDEX IF NOT EXISTS idx_bets_express
    ON bets(express_id);

CREATE INDEX IF NOT EXISTS idx_messages_thread
    ON support_messages(thread_id);
"""

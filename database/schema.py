# ======================= FOLDERS ========================

folder_schema = '''
    CREATE TABLE IF NOT EXISTS folders (
        folder_id TEXT PRIMARY KEY,
        folder_name TEXT NOT NULL,
        created_at INTEGER NOT NULL DEFAULT 0
    )
'''

# ======================= CARDS ==========================

card_schema = '''
    CREATE TABLE IF NOT EXISTS cards (
        position INTEGER PRIMARY KEY AUTOINCREMENT,
        card_id TEXT UNIQUE NOT NULL,
        folder_id TEXT NOT NULL DEFAULT 'default',

        -- Card content ('text' or 'image'; image content is a Telegram file_id)
        front_type TEXT NOT NULL DEFAULT 'text',
        front_content TEXT NOT NULL,
        back_type TEXT NOT NULL DEFAULT 'text',
        back_content TEXT NOT NULL,
        phonetic TEXT,
        tags TEXT NOT NULL DEFAULT '[]',

        -- SRS parameters (interval in minutes, times in epoch ms)
        interval REAL DEFAULT 0,
        repetition INTEGER DEFAULT 0,
        ease_factor REAL DEFAULT 2.5,
        next_review_time REAL DEFAULT 0,

        created_at INTEGER NOT NULL DEFAULT 0,

        FOREIGN KEY (folder_id) REFERENCES folders(folder_id)
    )
'''

# ======================= SETTINGS =======================

settings_schema = '''
    CREATE TABLE IF NOT EXISTS settings (
        key TEXT PRIMARY KEY,
        value TEXT
    )
'''

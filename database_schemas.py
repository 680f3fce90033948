# Records reference each other by id only; no FOREIGN KEY clauses, so
# dependent rows must be removed explicitly (see cascade.py).

USERS_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'influencer', 'admin')),
    created_at TEXT NOT NULL
)
'''

SESSIONS_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS sessions (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    expires_at TEXT NOT NULL
)
'''

POSTS_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS posts (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL,
    media_url TEXT NOT NULL,
    media_type TEXT NOT NULL CHECK (media_type IN ('image', 'video')),
    caption TEXT,
    share_count INTEGER NOT NULL DEFAULT 0 CHECK (share_count >= 0),
    status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved', 'rejected')),
    created_at TEXT NOT NULL
)
'''

POST_LIKES_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS post_likes (
    post_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (post_id, user_id)
)
'''

COMMENTS_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS comments (
    id TEXT PRIMARY KEY,
    post_id TEXT NOT NULL,
    user_id TEXT NOT NULL,
    text TEXT NOT NULL,
    created_at TEXT NOT NULL
)
'''

FOLLOWS_TABLE_SCHEMA = '''
CREATE TABLE IF NOT EXISTS follows (
    id TEXT PRIMARY KEY,
    follower_id TEXT NOT NULL,
    following_id TEXT NOT NULL,
    created_at TEXT NOT NULL,
    UNIQUE (follower_id, following_id),
    CHECK (follower_id != following_id)
)
'''

INDEXES_SCHEMA = [
    "CREATE INDEX IF NOT EXISTS idx_posts_user ON posts (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_posts_status_created ON posts (status, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_comments_post ON comments (post_id)",
    "CREATE INDEX IF NOT EXISTS idx_comments_user ON comments (user_id)",
    "CREATE INDEX IF NOT EXISTS idx_follows_following ON follows (following_id)",
    "CREATE INDEX IF NOT EXISTS idx_sessions_user ON sessions (user_id)",
]

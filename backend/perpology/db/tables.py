"""
Single source of truth for database tables that exist after migrations (001–002).
"""
# All tables that exist in the DB. Must match models and migrations.
ALL_TABLE_NAMES = (
    "chats",
    "messages",
)

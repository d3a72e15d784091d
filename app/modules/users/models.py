# Supabase table: users (public schema)
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Rows are created by the Clerk webhook (clerk_id set) or by the OAuth
# callback (id equal to auth.users.id); never by profile edits.

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, default: gen_random_uuid())
- clerk_id: text (unique, nullable) - Clerk subject id
- email: text (nullable)
- is_freelancer: boolean (not null, default: false)
- avatar_path: text (nullable) - object path in the avatars bucket
- avatar_content_type: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""

USERS_TABLE = "users"
RECOMMENDED_LIMIT = 30
SEARCH_LIMIT = 20

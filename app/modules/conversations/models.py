# Supabase tables: conversations, messages
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

conversations:
- id: uuid (primary key, default: gen_random_uuid())
- user1_id: uuid (foreign key to users.id, not null) - lexicographically smaller id
- user2_id: uuid (foreign key to users.id, not null) - lexicographically larger id
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
- unique constraint on (user1_id, user2_id)
- check constraint user1_id < user2_id

messages:
- id: uuid (primary key, default: gen_random_uuid())
- conversation_id: uuid (foreign key to conversations.id, not null)
- sender_id: uuid (foreign key to users.id, not null)
- receiver_id: uuid (foreign key to users.id, not null)
- content: text (not null)
- is_read: boolean (not null, default: false) - the only column ever updated
- message_type: text (default: 'text') - values: text, form, form_response
- form_id: uuid (foreign key to forms.id, nullable)
- attachment_url: text (nullable) - object path in the message-attachments bucket
- attachment_type: text (nullable) - values: image, file
- created_at: timestamp (default: now())
"""

CONVERSATIONS_TABLE = "conversations"
MESSAGES_TABLE = "messages"

UNIQUE_VIOLATION = "23505"


def canonical_pair(user_a: str, user_b: str) -> tuple:
    """Smaller id first, so (A, B) and (B, A) name the same conversation"""
    return (user_a, user_b) if user_a < user_b else (user_b, user_a)

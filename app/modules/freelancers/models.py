# Supabase tables: freelancer_profiles, its seven child tables, categories,
# profile_operations
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

freelancer_profiles:
- id: uuid (primary key)
- user_id: uuid (foreign key to users.id, unique, not null)
- first_name, last_name, display_name: text (nullable)
- description: text (nullable)
- occupation, custom_occupation: text (nullable)
- profile_picture_url: text (nullable)
- price: numeric (nullable)
- portfolio_images: text[] (default: '{}') - paths in the portfolio bucket
- onboarding_completed_at: timestamp (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Child tables, each with id uuid primary key and
freelancer_id uuid (foreign key to freelancer_profiles.id, not null, no cascade):
- freelancer_payment_info: payment_type, account_number, account_holder_name
- freelancer_documents: document_type, document_url (path in freelancer-documents)
- freelancer_certificates: name, issuer, year
- freelancer_education: country, university, title, major, year
- freelancer_skills: skill, level
- freelancer_categories: category_id (foreign key to categories.id)
- freelancer_languages: language, proficiency_level

categories:
- id: uuid (primary key)
- name: text (unique, not null)

profile_operations (intent journal for multi-step profile writes):
- id: uuid (primary key)
- user_id: uuid (not null)
- operation: text - values: upsert, delete
- status: text - values: pending, completed, aborted, compensated, partial, failed, reconciled
- payload: jsonb (nullable)
- failed_tables: text[] (nullable)
- error: text (nullable)
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)
"""

PROFILES_TABLE = "freelancer_profiles"
CATEGORIES_TABLE = "categories"
OPERATIONS_TABLE = "profile_operations"

PAYMENT_INFO_TABLE = "freelancer_payment_info"
DOCUMENTS_TABLE = "freelancer_documents"
CERTIFICATES_TABLE = "freelancer_certificates"
EDUCATION_TABLE = "freelancer_education"
SKILLS_TABLE = "freelancer_skills"
FREELANCER_CATEGORIES_TABLE = "freelancer_categories"
LANGUAGES_TABLE = "freelancer_languages"

# Deletion order; the store does not cascade these
CHILD_TABLES = [
    PAYMENT_INFO_TABLE,
    DOCUMENTS_TABLE,
    CERTIFICATES_TABLE,
    EDUCATION_TABLE,
    SKILLS_TABLE,
    FREELANCER_CATEGORIES_TABLE,
    LANGUAGES_TABLE,
]

OP_UPSERT = "upsert"
OP_DELETE = "delete"

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_ABORTED = "aborted"
STATUS_COMPENSATED = "compensated"
STATUS_PARTIAL = "partial"
STATUS_FAILED = "failed"
STATUS_RECONCILED = "reconciled"

UNSETTLED_STATUSES = [STATUS_PENDING, STATUS_PARTIAL, STATUS_FAILED]

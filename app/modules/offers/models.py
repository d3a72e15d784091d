# Supabase tables: forms, project_files
# Storage bucket: project_submissions, objects at {userId}/{formId}_{timestamp}_{name}
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

forms:
- id: uuid (primary key)
- conversation_id: uuid (foreign key to conversations.id, not null)
- sender_id, receiver_id: uuid (foreign key to users.id, not null)
- title, description, time_estimate: text (not null)
- price: numeric (not null, > 0)
- form_type: text - values: proposal, commercial
- status: text (default: 'pending') - values: pending, accepted, refused
- responded_at: timestamp (nullable)
- project_submitted: boolean (default: false)
- project_submitted_at: timestamp (nullable)
- project_submission_url: text (nullable)
- project_notes: text (nullable)
- created_at: timestamp (default: now())

project_files:
- id: uuid (primary key)
- form_id: uuid (foreign key to forms.id, not null)
- file_name, file_path, file_type: text
- file_size: integer
- uploaded_at: timestamp (default: now())
"""

FORMS_TABLE = "forms"
PROJECT_FILES_TABLE = "project_files"

FORM_TYPE_PROPOSAL = "proposal"
FORM_TYPE_COMMERCIAL = "commercial"

FORM_PENDING = "pending"
FORM_ACCEPTED = "accepted"
FORM_REFUSED = "refused"

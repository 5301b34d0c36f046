# Supabase tables: privacy_audit_log, account_deletion_requests, data_export_requests
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

privacy_audit_log (RLS: insert/select where auth.uid() = user_id):
- id: uuid (primary key)
- user_id: uuid (references profiles.id on delete cascade)
- action: text (privacy_settings_updated, data_exported, account_deletion_requested, account_deletion_cancelled)
- details: text (nullable)
- ip_address: text (nullable)
- user_agent: text (nullable)
- timestamp: timestamptz default now()

account_deletion_requests (RLS: insert/select/update where auth.uid() = user_id):
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- reason: text (nullable)
- status: text check in ('pending', 'cancelled', 'completed')
- requested_at: timestamptz default now()
- scheduled_deletion_date: timestamptz (requested_at + 30 days)
- cancelled_at: timestamptz (nullable)
- completed_at: timestamptz (nullable)

data_export_requests (RLS: insert/select where auth.uid() = user_id):
- id: uuid (primary key)
- user_id: uuid (references profiles.id)
- status: text check in ('pending', 'completed', 'expired')
- requested_at: timestamptz
- completed_at: timestamptz (nullable)
- export_expires_at: timestamptz (completed_at + 7 days)
"""

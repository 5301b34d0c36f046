# Supabase tables: profiles, auth.users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

profiles (RLS: select/insert/update only where auth.uid() = id):
- id: uuid (primary key, references auth.users.id on delete cascade)
- username: text (unique)
- full_name: text (nullable)
- email: text
- avatar_url: text (nullable) - public URL in the profile-pictures bucket
- about_me: text (nullable, <= 500 chars)
- age: integer (nullable until onboarding)
- education_status: text check in ('highschool', 'college', 'professional', 'not_in_school')
- coding_languages: text[] (<= 15 entries)
- github_username: text (nullable)
- github_repository_count: integer default 0
- github_commit_count: integer default 0 (estimated, repos * 10)
- onboarding_completed: boolean default false
- account_status: text default 'active' check in ('active', 'pending_deletion', 'suspended', 'deleted')
- privacy_settings: jsonb (see app.modules.privacy.schemas.PrivacySettings)
- created_at: timestamptz default now()
- updated_at: timestamptz - also the freshness marker for the GitHub counts

A row is created by the handle_new_user trigger on auth.users insert.
"""

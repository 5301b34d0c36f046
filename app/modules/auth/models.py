# Supabase Auth
# Users live in auth.users, managed entirely by Supabase Auth (email/password
# and the GitHub OAuth provider). This service never stores credentials.

"""
Fields read from auth.users by this service:

- id: uuid, also the primary key of public.profiles
- email
- email_confirmed_at, created_at, last_sign_in_at (data export)
- user_metadata: provider profile data. GitHub sign-in fills
  user_name / login, full_name / name, avatar_url / picture, public_repos.
- app_metadata: server-side only. provider, and type == "super_user" for operators.

The handle_new_user trigger creates the matching profiles row on sign-up;
ProfileService.ensure_profile covers users created before the trigger existed.
"""

# Supabase table: users
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py
# Authentication is handled by Supabase Auth (auth.users table)

"""
Expected Supabase table structure:

users:
- id: uuid (primary key, references auth.users.id)
- username: text (unique, not null)
- name: text (not null)
- war_name: text (nullable) - nome de guerra
- email: text (unique, not null) - synced with auth.users
- rank: text (not null) - posto/graduação, one of constants.RANKS
- saram: text (unique, 7 digits)
- cpf: text (unique, 11 digits, nullable)
- sector: text (not null)
- access_level: text (default: 'N1') - values: N1, N2, N3, OM
- phone_number: text (nullable)
- approved: boolean (default: false)
- function_id: text (nullable) - key of permissions_config.USER_FUNCTIONS
- custom_permissions: text[] (default: '{}')
- display_order: integer (default: 0)
- photo_url: text (nullable)
- pending_password_reset: boolean (default: false)
- reset_password_at_login: boolean (default: false)
- password_status: text (nullable) - ACTIVE after a forced reset is completed
- signature_hash: text (nullable) - bcrypt hash of the signature PIN, never exposed
- created_at: timestamp (default: now())
- updated_at: timestamp (nullable)

Note: Passwords live only in auth.users, managed by Supabase Auth.
"""

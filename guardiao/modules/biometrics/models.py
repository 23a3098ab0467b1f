# Supabase tables: webauthn_credentials, webauthn_challenges
# This file documents the expected database schema
# Actual operations are handled via Supabase SDK in service.py

"""
Expected Supabase table structure:

webauthn_credentials:
- id: uuid (primary key, default: gen_random_uuid())
- user_id: uuid (foreign key to users.id)
- credential_id: text (unique) - base64url credential id
- public_key: text - base64url COSE public key
- sign_count: integer (default: 0)
- transports: text[] (nullable)
- name: text (nullable) - device label chosen by the militar
- created_at: timestamp (default: now())
- last_used_at: timestamp (nullable)

webauthn_challenges:
- id: uuid (primary key, default: gen_random_uuid())
- user_id: uuid (foreign key to users.id)
- challenge: text - base64url challenge issued by the server
- purpose: text - 'registration' or 'authentication'
- expires_at: timestamp
- used: boolean (default: false)
- created_at: timestamp (default: now())
"""

# Supabase Auth
# This module uses Supabase's built-in authentication system
# Passwords never touch the users table - Supabase Auth handles:
# - Credential storage and hashing (auth.users table)
# - Login and session management
# - JWT token generation and validation

"""
Supabase Auth provides:
- auth.sign_in_with_password() - Authenticate militares (identifier resolved to e-mail first)
- auth.get_user() - Get current user from JWT token
- auth.sign_out() - Logout users
- auth.admin.create_user() - Registration (unapproved until the Comandante approves)
- auth.admin.update_user_by_id() - Password changes and forced resets

The users table (see modules/users/models.py) shares its primary key with auth.users.
"""

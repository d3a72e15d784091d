# Supabase Auth
# This module uses Supabase's built-in authentication system for password
# login, OAuth code exchange and password recovery. Clerk-provisioned users
# arrive through app.modules.webhooks instead.
#
# Both identity systems converge on the public.users table documented in
# app.modules.users.models: Supabase users are keyed by users.id (equal to
# auth.users.id), Clerk users by users.clerk_id.

"""
Supabase Auth provides:
- auth.sign_up() - Register new users (email confirmation required)
- auth.sign_in_with_password() - Authenticate users
- auth.exchange_code_for_session() - Finish an OAuth / magic-link redirect
- auth.reset_password_for_email() - Send a recovery link
- auth.get_user() - Get current user from JWT token
- auth.admin.update_user_by_id() - Set a new password (service role)
- auth.sign_out() - Logout users
"""

MIN_PASSWORD_LENGTH = 6
DEFAULT_CALLBACK_NEXT = "/account"
AUTH_ERROR_PATH = "/auth/auth-code-error"

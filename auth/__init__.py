"""
auth — end-user identity for integration owners.

Provides:
  • Signed user tokens (HMAC-SHA256 over a base64 JSON payload)
  • bcrypt password hashing
  • Register / Login API routes
  • ``get_current_user_id`` FastAPI dependency
"""

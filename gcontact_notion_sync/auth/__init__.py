"""Google OAuth2 authentication."""

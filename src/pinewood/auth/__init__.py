"""Authentication and authorization.

Learn: Two authentication paths:
1. Users → username/password → signed JWT carrying profile claims
2. Scorekeeping station → shared secret in the request

Bearer tokens resolve to a CurrentIdentity used by the user/admin guards.
"""

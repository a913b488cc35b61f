"""Authentication and authorization.

Users exchange email/password for an opaque bearer token
(POST /v1/tokens/authentication). Every /v1 request resolves its
Authorization header to an identity, either Anonymous or
Authenticated(user), and routes that need more declare the permission
code they require with require_permission().
"""

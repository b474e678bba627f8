"""
Use Cases

Organized into domain folders:
- auth/: Registration, login and password reset flows
- sessions/: Session issuance, refresh and revocation
- audit/: Audit event review
"""

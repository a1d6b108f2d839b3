"""
High-level use cases for the FuelGo API.

Each service module orchestrates repositories/adapters to implement business
rules (delete an account, consume an approval link).

Routers (FastAPI endpoints) call these services instead of talking to the
database, the mailer or the identity provider directly.
"""

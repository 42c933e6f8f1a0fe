"""
Entity services for database access.

`base` declares the `EntityService` contract and its SQLAlchemy
implementation; per-domain modules extend it.
"""

"""Business logic layer.

Services take an AsyncSession, build the repositories they need, and
return pydantic models or ORM rows. They never commit; the request's
session dependency owns the transaction.
"""

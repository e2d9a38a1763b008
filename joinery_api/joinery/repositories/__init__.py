"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area. They never
commit on their own; the calling service owns the transaction boundary
(see joinery.services.base.BaseService.atomic).
"""

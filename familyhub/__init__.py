"""
FamilyHub - Source Package

A family-management toolkit: member profiles, health records,
diet planning and balance transfers between family members,
backed by a hosted table store and third-party AI/payment APIs.

DESIGN PRINCIPLES:
1. The remote store is the source of truth, the mirror is a cache
2. Fail visibly - mutations record the error AND re-raise it
3. Recommendation refresh is best-effort and never blocks a mutation
4. Every step must be auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "FamilyHub Team"

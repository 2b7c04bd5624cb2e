"""access/ -- Page-level access control for the admin console.

Resolves whether an identity may open a page from three inputs: the static
PageRegistry, the administrator role classifier, and per-user overrides
persisted by PageAccessStore.

Layer rule: access/ may import from auth/ and core/. It does NOT import
from api/ or web/; those layers import from access/.
"""

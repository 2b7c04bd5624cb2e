"""auth/ -- Authentication, users and roles for the admin console.

Layer rule: auth/ imports only core/, stdlib and third-party libraries.
It does NOT import from access/, api/, or web/.
access/, api/ and web/ import from auth/, not the other way around.
"""

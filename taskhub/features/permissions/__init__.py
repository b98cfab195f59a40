"""
Team permission feature module.

Implements team-scoped Role-Based Access Control (RBAC): a seeded permission
catalog, global and team-private roles, and the resolver that decides what a
user may do on a team.
"""

"""
Tree permission feature module.

Resolves what a user may do in a family tree by running an ordered chain of
strategies (owner-only, attribute-based, role-based) and caching the
decisions per user, tree, and permission.
"""

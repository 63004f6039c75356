"""
Domain layer: identifier scopes, entity models, errors and the resolver that
expands a scope into a fully populated entity tree.
"""

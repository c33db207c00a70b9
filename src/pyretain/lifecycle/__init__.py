"""Lifecycle layer.

Binds an ephemeral consumer's create/destroy signals to the entity store:
restore on create, capture on destroy.
"""

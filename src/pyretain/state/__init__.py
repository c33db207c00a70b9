"""State/store layer.

Process-wide keyed state records with push-based per-key subscriptions.
Ephemeral consumers reach it through :mod:`pyretain.lifecycle`.
"""

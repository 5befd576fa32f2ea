"""Routing: route descriptors and the compiled trie router.

Routes are registered during setup and compiled into an immutable
lookup structure when the app freezes.
"""

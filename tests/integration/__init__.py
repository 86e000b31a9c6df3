"""
Integration Tests Package

End-to-end tests of ingest and retrieval, through the engine and through
the HTTP surface.

TEST AXIOMS:
=============
1. Determinism: equal documents yield equal identifiers
2. Coherency: a cached response always equals the stored object
3. Best effort: cache faults never change a client-visible outcome
"""

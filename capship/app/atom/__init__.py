"""
atom — Atom feeds carrying CAP alert summaries.

Sub-modules:
    models  — Feed / Entry documents and their codec
    client  — HTTP retrieval of remote feeds and linked alerts
"""

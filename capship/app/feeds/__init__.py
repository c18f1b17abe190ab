"""
feeds — Aggregation of stored alerts into the published feed.

Sub-modules:
    generator  — alert → entry projection and feed assembly
    jobs       — on-demand and periodic aggregation runs
"""

"""
storage — File-backed alert and feed documents.
"""

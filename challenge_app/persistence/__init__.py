"""
File-backed plan document storage.
"""

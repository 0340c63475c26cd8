"""
Session runtime: periodic tick scheduling and user notifications.
"""

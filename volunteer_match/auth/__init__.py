"""
Session authentication for the HTTP layer.
"""

"""MongoDB access.

This package centralizes:
- pymongo client construction from settings
- collection names and index definitions
- document helpers shared by repositories (ids, timestamps)
"""

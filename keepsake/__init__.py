"""
Keepsake - a private space for two people to share photos, memories,
messages and anniversaries.
"""

__version__ = "0.1.0"

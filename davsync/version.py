"""
DavSync - Version

Single source of the client version.
"""

VERSION = "1.0.0"

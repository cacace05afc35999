"""Strategy content: versioning, image association and the service facade."""

"""
Family tree service: GEDCOM import/export, duplicate detection and relationship management
"""

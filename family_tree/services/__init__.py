"""
Service layer: domain logic on top of the repositories
"""

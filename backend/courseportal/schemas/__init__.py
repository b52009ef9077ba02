"""
Request and response schemas for the course portal API.
"""

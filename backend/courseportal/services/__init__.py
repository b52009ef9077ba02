"""
Domain services for the course portal.

Routers stay thin; the rules for content, progress, quizzes, diplomas,
invites, magic links and metrics live here.
"""

"""
Course portal backend.

Course delivery for companies and their customers: content management,
learner progress, quizzes, diplomas and invites.
"""

__version__ = "1.0.0"

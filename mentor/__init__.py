"""
brain-mentor: closed-loop mastery verification for personalized lessons.

Builds exercise batteries from lesson content, grades learner answers
against mastery criteria, and remediates gaps until the learner passes.
"""

__version__ = "0.1.0"

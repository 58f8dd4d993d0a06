"""
Exam Grader - automated grading for the tutoring exam portal.

This package grades submitted exams question by question using a fixed,
lenient heuristic policy, with an optional LLM-assisted path for coding
questions, and keeps each submission's grading status consistent in the
data store.
"""

__version__ = "1.0.0"
__author__ = "Exam Portal Team"

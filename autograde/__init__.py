"""
Turtle Autograder: Automated problem-set grading with sandboxed test swaps + LLM

Runs instructor tests against each student's implementation, runs each
student's tests against the instructor's reference implementation, collects
the student's personal art, and reports the results.
"""

__version__ = "0.1.0"

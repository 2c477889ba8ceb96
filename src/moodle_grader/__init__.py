"""
Moodle Grader

Command-line client for Moodle assignments: list a course's assignments,
download submitted files, and upload grades with feedback.
"""

__version__ = "0.1.0"

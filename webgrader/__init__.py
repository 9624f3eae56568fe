"""
Web Grader: Automated grading of student web pages

A browser-driven grading pipeline that combines DOM checks, full-page
screenshots and GPT-4o visual judgment for HTML/CSS assignments.
"""

__version__ = "0.1.0"

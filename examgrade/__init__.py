"""Exam answer grading tools."""

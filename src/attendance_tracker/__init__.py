"""Attendance Tracker package.

Organized by feature modules (users, attendance, leaves, stats) with a thin
Flask controller layer over service and repository layers.
"""

"""
EnrollDesk: terminal admin console for the student enrollment API.
"""

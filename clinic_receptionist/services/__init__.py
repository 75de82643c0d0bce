"""
Service layer for the clinic receptionist.
"""

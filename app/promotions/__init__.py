"""
Promotions app - discount codes applied to bookings.
"""

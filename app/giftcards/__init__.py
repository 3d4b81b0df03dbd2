"""
Gift cards app - stored-value instruments redeemed against bookings.
"""

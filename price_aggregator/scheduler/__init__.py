"""
Periodic competitor price refresh.
"""

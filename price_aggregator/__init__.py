"""
Competitor price aggregation service.
"""

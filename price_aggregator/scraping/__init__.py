"""
Competitor price scraping engine.
"""

"""
etl/api package marker.
"""

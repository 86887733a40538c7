"""
etl/services package marker.
"""

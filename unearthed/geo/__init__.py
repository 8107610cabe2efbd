"""
Coordinate handling: WGS84 / UTM zone 32N conversion and display formats.
"""

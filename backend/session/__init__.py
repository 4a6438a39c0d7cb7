"""
Map session lifecycle: active route animation plus the public-route refresh loop.
"""

"""
Authentication core: credential checks, token minting and rotation, and the
register/login/logout/refresh flows that the HTTP layer exposes.
"""

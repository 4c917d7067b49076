"""
Scorebox - ball-by-ball cricket scoring engine
"""
__version__ = "0.1.0"

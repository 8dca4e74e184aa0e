"""
ImgForge - guided OS image creation and device flashing client
"""

__version__ = "1.0.0"

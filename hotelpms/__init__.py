"""
HotelPMS - room lifecycle and workforce admission core
"""
__version__ = "1.0.0"

"""
Colorado Air Quality regional collection pipeline.

Collects daily AirNow observations for Colorado regions and keeps a rolling
30-day asthma-impact history per region and pollutant.
"""

__version__ = "1.0.0"

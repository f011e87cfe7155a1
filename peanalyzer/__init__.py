"""PeAnalyzer - PE report, image and icon extraction command line tool"""
__version__ = "1.0.0"

"""
juicebot - a Discord bot for game servers, callouts and name history.
"""

__version__ = '0.3.0'

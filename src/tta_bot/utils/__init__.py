"""
Utility Modules for tta-bot.

    - timeit.py: Performance measurement utilities
"""

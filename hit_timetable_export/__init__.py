"""
Import HIT weekly timetable sheets (.xls / .xlsx / saved HTML) and
filter courses by teaching week.
"""
__version__ = "0.1.0"

"""
ScanCompare - Longitudinal Scan Comparison Service

Compares two AI analyses of the same body region (a "before" and an
"after" scan) and reports resolved, new and changed findings together
with an overall trend, recommendations and a templated narrative.

IMPORTANT: This is NOT a diagnosis tool. Findings are produced upstream
and every report must be reviewed by a qualified clinician.
"""

__version__ = "1.0.0"
__author__ = "ScanCompare Team"

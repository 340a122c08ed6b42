"""AttendCode — rotating attendance codes for clock-in verification."""

__version__ = "0.1.0"

"""
Module entry point.

Usage:
    python -m parcel_notifier run QUERY        # One poll cycle
    python -m parcel_notifier service QUERY    # Poll on an interval
"""

from parcel_notifier.cli import main

if __name__ == "__main__":
    main()

#!/usr/bin/env python3
"""APK Store - Module entry point."""
import sys

from apkstore.cli import main

if __name__ == "__main__":
    sys.exit(main())

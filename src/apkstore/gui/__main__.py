#!/usr/bin/env python3
"""Module entry point for the APK Store GUI."""

import sys
from apkstore.gui.store_window_qt import main

if __name__ == "__main__":
    sys.exit(main())

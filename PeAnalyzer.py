#!/usr/bin/env python3
# -*- coding: UTF-8 -*-
"""
PE File Analyzer - command line front end.

Analyzes a single Portable Executable (PE) file and produces any of:
1. A text report (console or file) covering headers, sections, imports,
   exports, resources, hashes, imphash, overlay and parser anomalies.
2. A composite PNG picture: byte plot, entropy heat map and PE structure.
3. The group icon resources, extracted as numbered .ico files.

Non-PE input is classified against a bundled file-type signature database.

usage:
  python PeAnalyzer.py [-o <outfile>] [-p <imagefile>] [-i <folder>] <PEfile>
"""
from peanalyzer.main import main

if __name__ == "__main__":
    main()

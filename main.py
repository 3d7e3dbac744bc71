#!/usr/bin/env python3
"""
FastCode Proxy

Reverse proxy that accelerates access to GitHub for clients behind
restrictive networks. Prefix any GitHub URL with the proxy address:

    http://proxy:8080/https://github.com/owner/repo/archive/master.zip
    http://proxy:8080/github.com/owner/repo/blob/main/README.md

Features:
- releases, archives, raw files, gists, git smart HTTP and API proxying
- owner/repo white and black lists, plus optional proxying of other hosts
- file size limit checked against the declared Content-Length
- config file reloaded periodically without restart

Usage:
    python main.py [--config CONFIG_PATH] [--host HOST] [--port PORT]

Default config path: ./config/fastcode.json5
"""

from fastcode.server import main

if __name__ == "__main__":
    main()

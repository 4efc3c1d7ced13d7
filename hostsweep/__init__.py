# -*- coding: utf-8 -*-

"""
hostsweep (async)
Subdomain and zero-rate host sweeps: candidate generation, DNS pre-check,
bounded-concurrency HTTP probing, fingerprint notes, resumable outputs.
"""

__version__ = "1.0.0"

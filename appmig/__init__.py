# CUI // SP-CTI
"""appmig — phased App Engine traffic migration between two versions."""

__version__ = "0.3.0"

# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.
__version__ = "0.1.0"

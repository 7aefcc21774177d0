# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

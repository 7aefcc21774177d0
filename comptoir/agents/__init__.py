# Copyright (c) 2026 Comptoir Contributors. All Rights Reserved.

"""
Domain handlers — Intent routing and one bot per business domain.

The router classifies a message into an IntentLabel; BotDispatch maps
every label to exactly one handler (accounting, business data, marketing,
HR, business info, fallback).
"""

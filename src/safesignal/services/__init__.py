"""
Services for SafeSignal
"""

"""
Storefront service distribution.
"""

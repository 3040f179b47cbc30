"""Storefront checkout demo: fake services plus a scenario walkthrough."""

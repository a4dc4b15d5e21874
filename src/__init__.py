"""Position valuation and P&L engine for a multi-asset trading journal"""

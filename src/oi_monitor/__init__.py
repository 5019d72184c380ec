# OI Change Monitor Package
# option chain snapshot (upstream, untrusted)
#    ↓ (collector)
# validated chain frame, ATM located
#    ↓ (engine)
# outer window per-strike snapshots + inner window totals (strike 0)
#    ↓ (storage)
# append-only series per (symbol, strike), wiped daily
#    ↓ (api)
# lakh-scaled OI diff / PCR reads

__version__ = "1.0.0"

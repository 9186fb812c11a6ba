"""Frame transform core, runtime parameters and node wiring."""

"""FPL decision support: points projection, transfers, chips and squad building."""

"""cartcalc: shopping cart pricing and discount rule evaluation."""

__version__ = "0.1.0"

"""
stakepool: fixed-capacity, time-phased staking pools
"""

__version__ = "0.1.0"

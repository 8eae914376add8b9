"""Trophic NFD: niche and fitness differences in multitrophic Lotka-Volterra communities."""

__version__ = "0.1.0"

from trophic_nfd.core.engine import CommunityNFD, compute_community_nfd, compute_nfd

__all__ = ["CommunityNFD", "compute_nfd", "compute_community_nfd", "__version__"]

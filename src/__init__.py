"""
Rank Signal Engine

Competitive signal aggregation for SEO rank tracking:
1. Scores keyword opportunities and flags quick wins / falling stars
2. Measures competitor pressure on shared keywords
3. Scores competitor backlinks and ranks backlink gaps for outreach
"""

__version__ = "1.0.0"

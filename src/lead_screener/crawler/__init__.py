"""Page fetching, proxy rotation and HTML extraction."""

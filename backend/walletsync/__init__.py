"""walletsync - Apple Wallet web service for pass and order updates."""

"""
Kicker League - table football tournament service

Responsibilities:
- Account registration and cookie-based sessions
- Tournament registry with a fixed player roster per tournament
- Match results recording (owner-gated)
- Live leaderboard computed from the match list
- Club logo lookup for player clubs
"""

"""
Portfolio service package for laundromatzat.com.

Serves the public portfolio grid and the signed-in user's saved tool
output. It provides:

- app.main: API surface for the portfolio, links, tool items and health.
- app.auth: Bearer-token verification and token issuing.
- app.account_cards: Card rendering for the account page.
- app.persistence: SQLAlchemy tables, repositories and the CSV seed.

Guidelines:
- Every per-user query filters on the caller's id from the token.
- Tool rows are returned as stored; JSON columns stay encoded text.
"""

"""UNO domain services: cards, rules, bots, controllers and the room store.

Everything in this package is transport-agnostic. HTTP routes and socket
handlers import from here; the engine modules (cards, rules, bots) never
touch the database or Socket.IO.
"""

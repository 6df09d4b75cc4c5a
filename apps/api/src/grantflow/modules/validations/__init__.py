"""
Validations Module

Single-use, typed, time-boxed tokens that confirm an account, a password
reset or an email change:
1. A request dispatches a message on the bus
2. The message handler issues the token and emails a link
3. The user confirms the token; subscribers apply the effect
4. A nightly job purges expired tokens

Security Features:
- SHA-256 token hashing (tokens never stored in plain text)
- Constant-time token comparison
- At-most-once consumption (claim by delete)
- Rate-limited confirmation endpoint
"""

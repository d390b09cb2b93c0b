"""Auth Service: user registration, authentication, session tokens and user profiles."""

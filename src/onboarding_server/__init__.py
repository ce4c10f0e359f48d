"""onboarding_server — FastAPI HTTP surface for applicant onboarding."""

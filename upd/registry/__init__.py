"""npm registry access — endpoint/credential lookup, HTTP client, resolver."""

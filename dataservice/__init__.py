"""Multi-tenant data gateway serving templated SQL queries and static data files."""

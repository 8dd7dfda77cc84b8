"""
Command Line Interface Package

Unified CLI for Up sync and budget tracking.

Command Structure:
- upbudget: Main entry point with utility commands (version, config, ping)
- upbudget token: Store, verify and remove the Up API token
- upbudget sync: Full or incremental synchronization
- upbudget transactions: Listing and re-categorization
- upbudget budgets: Budget creation, listing, deletion and refresh
- upbudget webhooks: Webhook registration and delivery processing
"""

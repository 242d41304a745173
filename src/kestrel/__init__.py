"""
Kestrel - Discord bot framework with drift-free slash command registration

Commands are plain Python files grouped in category directories. Each file is
reachable both as a prefixed text command and as a subcommand of its
category's slash command.

Core Components:

- **Command Loader**: Discovers definition files, validates them and builds
  the name, alias and slash-payload registries
- **Reconciler**: Compares the locally built slash commands with what Discord
  has registered and applies only the differences, globally or per guild
- **Dispatch Router**: Routes prefixed messages and slash interactions to the
  matching definition, enforcing cooldowns and containing failures
- **Guild Settings**: Per-server prefix stored in a SQLite document store and
  cached in memory
- **Backup Scheduler**: Daily archive of the stored collections posted to a
  Discord channel

Usage:
    from kestrel.main import main
    main()
"""

# Command-line tools that talk to a running FlashVault API

"""EC2 instance metadata credentials emulator with runtime-switchable IAM roles."""

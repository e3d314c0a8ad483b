"""
Spatialshot credential subsystem
Copyright (c) 2025

SECURITY NOTICE AND THREAT MODEL:
Provider API keys are encrypted at rest with a key derived from a passphrase
bound to this machine and user account. The passphrase is not a user secret;
it only keeps key files from being usable when copied to another machine or
account. It is not a substitute for a system keychain.
"""

# Authentication and session identity

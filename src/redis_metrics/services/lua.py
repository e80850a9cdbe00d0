"""Server-side scripts that update a value and its TTL atomically.

Running INCRBY and EXPIRE as separate commands leaves a window in which a new
key exists without a TTL.
"""

from typing import Final

# KEYS[1] = key, ARGV[1] = amount, ARGV[2] = ttl seconds
INCRBY_EXPIRE: Final[str] = """
local value = redis.call('INCRBY', KEYS[1], ARGV[1])
redis.call('EXPIRE', KEYS[1], ARGV[2])
return value
"""

# KEYS[1] = key, ARGV[1] = amount, ARGV[2] = member, ARGV[3] = ttl seconds
ZINCRBY_EXPIRE: Final[str] = """
local score = redis.call('ZINCRBY', KEYS[1], ARGV[1], ARGV[2])
redis.call('EXPIRE', KEYS[1], ARGV[3])
return score
"""

"""Meeting poll: time slot voting with primary and secondary preferences."""

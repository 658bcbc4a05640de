"""
nsxt_dhcp

This package converges the advanced DHCP topology of a worker subnet in an
NSX-T control plane: edge cluster binding, DHCP profile, DHCP server,
logical switch binding, DHCP port and DHCP IP pool.

We keep modules small and well separated:
core contains shared data structures, address math, diffing and errors
execution contains the remote API interface and its implementations
tasks contains one convergence task per resource kind
agent contains the ensurer that runs the fixed task list
"""

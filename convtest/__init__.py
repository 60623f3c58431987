# SPDX-License-Identifier: ISC
#
# Convergence tests for routed virtual topologies.
#

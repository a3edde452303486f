# SPDX-License-Identifier: Apache-2.0

"""
Middleware package for request processing.

This package contains middleware components for authentication, authorization,
validation and error rendering in the multiplication readiness API.
"""

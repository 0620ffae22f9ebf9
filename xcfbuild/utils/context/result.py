#
# Copyright 2024 xcfbuild Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.


class CliResult:
    """Outcome of one pipeline step.

    A step either succeeded, degraded (a tool failed or a placeholder was
    substituted, but the pipeline can continue) or failed fatally. The caller
    decides what a degraded result means for the run.
    """

    SUCCESS = "success"
    DEGRADED = "degraded"
    FATAL = "fatal"

    def __init__(self, value=None, error=None, status=None, step=""):
        self.value = value
        self.error = error
        self.step = step
        if status is None:
            status = self.SUCCESS if error is None else self.FATAL
        self.status = status

    @classmethod
    def success(cls, value=None, step=""):
        return cls(value=value, status=cls.SUCCESS, step=step)

    @classmethod
    def degraded(cls, value=None, error=None, step=""):
        return cls(value=value, error=error, status=cls.DEGRADED, step=step)

    @classmethod
    def fatal(cls, error, value=None, step=""):
        return cls(value=value, error=error, status=cls.FATAL, step=step)

    def is_success(self):
        return self.status == self.SUCCESS

    def is_degraded(self):
        return self.status == self.DEGRADED

    def is_failure(self):
        return self.status == self.FATAL

    def get_value(self, default=None):
        if self.is_failure():
            return default
        return self.value

    def get_error(self, default=None):
        if self.error is None:
            return default
        return self.error

    def __repr__(self):
        return f"CliResult(step={self.step!r}, status={self.status}, value={self.value!r}, error={self.error!r})"

"""
Settings for fluentreq.

These settings are global and can be accessed from any module in the fluentreq
package. They supply the defaults used by `fluentreq.http.client.Client` when
a constructor argument is not given.

The SETTINGS dict structure follows the structure of fluentreq submodules.

Expected usage behavior:

```python
from fluentreq.settings import SETTINGS

CLIENT_SETTINGS = SETTINGS.http.client
```

Once initialized, the settings are expected to be immutable (not enforced).
"""

SETTINGS = {
    'http': {
        'client': {
            # total seconds per transport call, handed to aiohttp.ClientTimeout
            'timeout': 30,
            'headers': {
                'User-Agent': 'fluentreq/0.1',
            },
            # applied to every request built by a Client unless overridden
            'expected_status': None,
            'retry_count': 0,
        },
    },
}


class AttrDict(dict):
    """
    A dictionary subclass that allows dot-notation access while
    recursively converting nested dictionaries.
    """
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Point the instance __dict__ to itself to allow attribute access
        self.__dict__ = self
        for key, value in self.items():
            self[key] = self._convert(value)

    @classmethod
    def _convert(cls, value):
        """Recursively converts dicts to AttrDicts, leaving other types alone."""
        if isinstance(value, dict) and not isinstance(value, cls):
            return cls(value)
        return value

    def __setitem__(self, key, value):
        # Ensure that new items added via dict-syntax are also converted
        super().__setitem__(key, self._convert(value))

    def __getattr__(self, key):
        try:
            return self[key]
        except KeyError as exc:
            raise AttributeError(f"AttrDict object has no attribute '{key}'") from exc


SETTINGS = AttrDict(SETTINGS)
CLIENT_SETTINGS = SETTINGS.http.client

class RemoteFile:
    """
    One entry of a LIST reply in Unix `ls -l` format:

        drwxr-xr-x   2 owner    group        4096 Oct 17 00:26 docs
        -rw-r--r--   1 owner    group         123 Oct 17  2025 my notes.txt
    """

    FIELDS = 9

    def __init__(self, line: str):
        parts = line.split(None, self.FIELDS - 1)
        if len(parts) < self.FIELDS:
            raise ValueError(f"Not a listing line: {line!r}")
        try:
            self.links = int(parts[1])
            self.size = int(parts[4])
            self.day = int(parts[6])
        except ValueError as e:
            raise ValueError(f"Not a listing line: {line!r}") from e

        self.permissions = parts[0]
        self.owner = parts[2]
        self.group = parts[3]
        self.month = parts[5]
        self.time = parts[7]
        self.name = parts[8]
        self.link_target = None
        if self.is_link and " -> " in self.name:
            self.name, self.link_target = self.name.split(" -> ", 1)

    @property
    def is_directory(self) -> bool:
        return self.permissions.startswith('d')

    @property
    def is_link(self) -> bool:
        return self.permissions.startswith('l')

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "type": "dir" if self.is_directory else "link" if self.is_link else "file",
            "size": self.size,
            "permissions": self.permissions,
            "owner": self.owner,
            "group": self.group,
            "modified": f"{self.month} {self.day} {self.time}",
        }

    def __repr__(self):
        return f"RemoteFile(name={self.name}, size={self.size}, dir={self.is_directory})"


def parse_listing(lines):
    """Parses LIST output, skipping blank lines and the `total N` header."""
    files = []
    for line in lines:
        if not line.strip() or line.startswith("total "):
            continue
        files.append(RemoteFile(line))
    return files

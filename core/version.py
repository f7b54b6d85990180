# Semantic version of criprof.
VERSION = "1.1.0"

# Pre-release marker such as "dev", "beta" or "rc1"; empty for a final release.
VERSION_PRERELEASE = ""


def version_string() -> str:
    if VERSION_PRERELEASE:
        return f"{VERSION}-{VERSION_PRERELEASE}"
    return VERSION

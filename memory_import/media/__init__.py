"""
Batch media import.

- source:     list a named collection (paged, capped)
- grouping:   split assets into calendar days
- classifier: decide from one sample whether a day is worth importing
- upload:     move asset bytes into blob storage
- records:    one memory per imported day
- pipeline:   BatchImporter, which drives all of the above
"""
